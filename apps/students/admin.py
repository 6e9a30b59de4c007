from django.contrib import admin

from .models import Enrollment, PromotionLog, Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('registration_number', 'full_name', 'role', 'school', 'status', 'graduated')
    list_filter = ('role', 'status', 'graduated', 'school')
    search_fields = ('registration_number', 'surname', 'firstname')
    readonly_fields = ('registration_number', 'graduation_date', 'created_at', 'updated_at')


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ('student', 'student_class', 'term', 'school', 'promotion_status',
                    'is_active', 'is_deleted')
    list_filter = ('is_active', 'is_deleted', 'promotion_status', 'school')
    search_fields = ('student__registration_number', 'student__surname')
    list_select_related = ('student', 'student_class', 'student_class__trade', 'term', 'school')
    readonly_fields = ('created_at', 'updated_at')


@admin.register(PromotionLog)
class PromotionLogAdmin(admin.ModelAdmin):
    list_display = ('student', 'status', 'from_class', 'to_class', 'academic_year',
                    'school', 'cron_job', 'promotion_date')
    list_filter = ('status', 'academic_year', 'cron_job', 'school')
    search_fields = ('student__registration_number', 'student__surname', 'remarks')
    ordering = ('-promotion_date',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
