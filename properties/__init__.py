"""
Properties app for the brokerage platform.

This app manages property listings and neighborhoods. It provides the core
catalogue models and the public and admin API endpoints for them.
"""
