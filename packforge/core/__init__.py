# packforge/core/__init__.py
