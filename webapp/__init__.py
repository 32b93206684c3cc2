"""YelpCamp web application"""
from webapp.app import create_app
from webapp.core import AppDeps

__all__ = ['create_app', 'AppDeps']
