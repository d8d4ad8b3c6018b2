"""
Pytest configuration for Django tests.
"""
import os

# pytest-django reads the settings module from pyproject.toml; this keeps
# plain ``django.setup()`` callers working too.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storefront.settings')
