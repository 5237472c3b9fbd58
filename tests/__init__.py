"""
Test suite for photoframe application.

This module contains all test cases for the application:
- Unit tests for models and persistence
- Unit tests for services and the import pipeline
- Unit tests for the operator CLI
"""
