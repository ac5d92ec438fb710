"""
IDE Integration Module

Keeps Qt Creator's list of SDK targets up to date.
"""

from sdkmanage.ide.notifier import QtCreatorNotifier

__all__ = ["QtCreatorNotifier"]
