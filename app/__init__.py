"""Bijoyfin: an async client for a Jellyfin style media server.

The FastAPI application lives in :mod:`app.main`; the reusable pieces
(session handling, catalog browsing, playback resolution) live in
:mod:`app.services`.
"""

from __future__ import annotations

__version__ = "1.0.0"
