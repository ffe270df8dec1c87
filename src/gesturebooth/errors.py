from __future__ import annotations


class GestureBoothError(Exception):
    """Base class for all gesturebooth errors."""


class ConfigurationError(GestureBoothError, ValueError):
    """Invalid configuration value or unknown configuration key."""


class TargetRegistrationError(ConfigurationError):
    """A virtual target registration was rejected."""


class ModelAssetError(GestureBoothError, RuntimeError):
    """A MediaPipe model file is missing and could not be fetched."""


class DetectorError(GestureBoothError, RuntimeError):
    """The MediaPipe backend could not be initialised."""
