"""Operator application theme (dark/light).

Process-wide state for the operator-facing surfaces only: loaded when an
operator's session is established, updated when they change it. Overlays
read ``Match.scoreboard_theme`` and never look here.
"""
from typing import Dict

THEMES = ('dark', 'light')
DEFAULT_THEME = 'dark'

_app_themes: Dict[int, str] = {}


def init_app_theme(user) -> str:
    theme = user.app_theme if user.app_theme in THEMES else DEFAULT_THEME
    _app_themes[user.id] = theme
    return theme


def current_app_theme(user) -> str:
    if user.id not in _app_themes:
        return init_app_theme(user)
    return _app_themes[user.id]


def set_app_theme(user, theme: str) -> str:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme: {theme}")
    user.app_theme = theme
    _app_themes[user.id] = theme
    return theme


def toggled(theme: str) -> str:
    return 'light' if theme == 'dark' else 'dark'


def forget_app_theme(user_id: int) -> None:
    _app_themes.pop(user_id, None)
