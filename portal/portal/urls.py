from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('accounts.urls')),
    path('api/', include('jobs.urls')),
    # Resume viewer under /api/ plus the public /uploads/ tree.
    path('', include('uploads.urls')),
]
