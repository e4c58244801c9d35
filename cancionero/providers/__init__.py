"""Concrete storage adapters (MongoDB via motor) and the shared client lifecycle."""
