"""
Marionette

网页交互捕获与回放：记录用户的点击、输入、按键与页面跳转，
生成可移植的动作日志，并按原始节奏在页面上重放。
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
