"""Routers Package"""
