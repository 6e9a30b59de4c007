from django.contrib import admin

from .models import AcademicTerm, School, StudentClass, Trade


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'passing_threshold', 'is_deleted')
    list_filter = ('is_deleted',)
    search_fields = ('code', 'name')


@admin.register(Trade)
class TradeAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'is_deleted')
    search_fields = ('code', 'name')


@admin.register(AcademicTerm)
class AcademicTermAdmin(admin.ModelAdmin):
    list_display = ('school', 'academic_year', 'term_number', 'start_date', 'end_date', 'is_deleted')
    list_filter = ('academic_year', 'term_number', 'school')
    ordering = ('-academic_year', 'term_number')


@admin.register(StudentClass)
class StudentClassAdmin(admin.ModelAdmin):
    list_display = ('class_name', 'school', 'year', 'capacity', 'is_deleted')
    list_filter = ('level', 'year', 'school')
    search_fields = ('trade__code', 'trade__name')
    list_select_related = ('school', 'trade')

    def class_name(self, obj):
        return obj.name
    class_name.short_description = 'Class'
