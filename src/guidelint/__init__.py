"""
guidelint - convention linter for layered web applications.

Detects violations of the web-application style guide:
- Persistence calls and imports from the web layer
- Scope arguments that are not first in context functions
- SQL assembled by string interpolation, queries built inline in handlers
- Handlers that read the authenticated principal repeatedly or unguarded
- Style-guide documents with unbalanced fences or unpaired Don't/Do sections

Usage:
    guidelint [root]
    guidelint --json
    guidelint --errors-only
    guidelint --watch
"""

__version__ = "0.3.0"
