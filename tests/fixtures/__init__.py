"""Reusable test fixtures for shed tests."""
