from django.contrib import admin

from .models import ReportCard, SubjectResult


class SubjectResultInline(admin.TabularInline):
    model = SubjectResult
    extra = 0


@admin.register(ReportCard)
class ReportCardAdmin(admin.ModelAdmin):
    list_display = ('student', 'student_class', 'academic_year', 'term', 'average', 'is_deleted')
    list_filter = ('academic_year', 'school', 'is_deleted')
    search_fields = ('student__registration_number', 'student__surname', 'student__firstname')
    readonly_fields = ('total_score', 'average')
    inlines = [SubjectResultInline]
