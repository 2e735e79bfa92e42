"""
Core business logic for the academy calendar.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns, so the layout engine can be tested in
isolation.
"""
