"""Root URL configuration.

The public API lives in a separate service; only the admin is mounted here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
