"""Utility helpers for Visual Composer."""
