"""Shared utilities for slidebridge."""
