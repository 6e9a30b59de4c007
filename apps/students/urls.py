from django.urls import path
from . import views_promotion

app_name = "students"

urlpatterns = [
    path("promotion/promote/", views_promotion.promote_students, name="promote_students"),
    path("promotion/transition/", views_promotion.transition_students, name="transition_students"),
    path("promotion/student/", views_promotion.promote_student, name="promote_student"),
    path("promotion/logs/", views_promotion.PromotionLogView.as_view(), name="promotion_logs"),
]
