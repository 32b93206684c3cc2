"""Shared helpers: image storage, sessions, schema validation"""
