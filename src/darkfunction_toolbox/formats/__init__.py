"""Readers for the darkFunction Editor XML dialects (``.sprites`` and ``.anim``)."""
