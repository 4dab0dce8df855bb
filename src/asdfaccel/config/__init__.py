"""Configuration package for asdfaccel."""

from .settings import AcceleratorSettings

__all__ = ["AcceleratorSettings"]
