# raw_pad/__init__.py

__version__ = "0.1.0"

from .buffer import Buffer
from .config import deep_merge, load_config, setup_logging
from .editor import Editor, Mode, main
from .highlighter import SyntaxHighlighter
from .plugins import Plugin, PluginManager
from .terminal import Terminal

__all__ = [
    'Buffer',
    'Editor',
    'Mode',
    'Plugin',
    'PluginManager',
    'SyntaxHighlighter',
    'Terminal',
    'deep_merge',
    'load_config',
    'setup_logging',
    'main'
]
