"""
Babel Relay
多语言房间实时字幕转发服务
"""

from babel_relay.__version__ import __version__

__all__ = ["__version__"]
