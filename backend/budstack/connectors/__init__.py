"""Clients for external APIs"""
