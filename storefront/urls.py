"""
URL configuration for storefront project.
"""
from django.contrib import admin
from django.urls import include, path

from shop.accounts import SignUpView
from shop.api.views import graphql_view

urlpatterns = [
    path('admin/', admin.site.urls),
    path('accounts/signup/', SignUpView.as_view(), name='signup'),
    path('accounts/', include('django.contrib.auth.urls')),
    path('graphql/', graphql_view, name='graphql'),
]
