"""Shared utilities: configuration-independent helpers, registry and REST client"""
