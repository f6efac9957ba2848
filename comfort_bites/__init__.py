"""
Comfort Bites recipe discovery service.

Responsibilities:
- Serve the recipe corpus with multi-dimensional filtering.
- Manage users, their favorites and session-based login.
"""
