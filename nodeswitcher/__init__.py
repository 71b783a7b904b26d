"""
NodeSwitcher - 在 nvm、nvm-windows、fnm、volta、mise 和 pnpm 之间统一切换 Node.js 版本。
"""

__version__ = "0.1.0"
