"""Configuration management package"""
from .defaults import *
from .settings_manager import ConverterSettings, SettingsManager

__all__ = ['ConverterSettings', 'SettingsManager']
