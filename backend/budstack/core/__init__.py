"""Configuration, database access, auth and cross-cutting helpers"""
