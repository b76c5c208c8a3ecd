from django.urls import path

from course_access import views

urlpatterns = [
    path('requests/', views.AccessRequestsView.as_view(), name='course-access-requests'),
    path('requests/my/', views.MyAccessRequestsView.as_view(), name='course-access-requests-mine'),
    path('requests/pending/', views.PendingAccessRequestsView.as_view(), name='course-access-requests-pending'),
    path('requests/<int:id>/respond/', views.AccessRequestRespondView.as_view(), name='course-access-request-respond'),
    path('my-courses/', views.MyCoursesView.as_view(), name='course-access-my-courses'),
]
