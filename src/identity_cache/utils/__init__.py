"""Utility functions."""

from identity_cache.utils.json_serializers import json_serializer

__all__ = ["json_serializer"]
