from django.contrib import admin
from django.http import HttpResponse
from django.urls import include, path
from django.views.generic import RedirectView

urlpatterns = [
    path('', RedirectView.as_view(url='/admin/', permanent=False), name='portal-home'),
    path('favicon.ico', lambda request: HttpResponse(status=204), name='favicon'),
    path('admin/', admin.site.urls),
    path('api/accounts/', include('accounts.urls')),
    path('api/course-access/', include('course_access.urls')),
    path('api/distributions/', include('distributions.urls')),
    path('api/notifications/', include('notifications.urls')),
]
