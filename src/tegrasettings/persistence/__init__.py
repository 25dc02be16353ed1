"""Persistent user preferences."""

from tegrasettings.persistence.preferences import PreferenceStore

__all__ = ["PreferenceStore"]
