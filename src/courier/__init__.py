"""Shared HTTP request engine for courier API clients."""
