from django.urls import path

from distributions import views

urlpatterns = [
    path('', views.DistributionListCreateView.as_view(), name='distribution-list'),
    path('<str:distribution_id>/', views.DistributionDetailView.as_view(), name='distribution-detail'),
    path('<str:distribution_id>/files/', views.DistributionFilesView.as_view(), name='distribution-files'),
    path('<str:distribution_id>/share/', views.DistributionShareView.as_view(), name='distribution-share'),
    path('<str:distribution_id>/status/', views.DistributionStatusView.as_view(), name='distribution-status'),
    path('<str:distribution_id>/download/', views.DistributionDownloadView.as_view(), name='distribution-download'),
    path('<str:distribution_id>/analytics/', views.DistributionAnalyticsView.as_view(), name='distribution-analytics'),
]
