"""Browser-side capture engine (Playwright, async API).

``consent`` keeps cookie banners out of the video, ``scroller`` finds and
drives the page's real scroll container, ``recorder`` wraps the video
start/stop handshake, and ``session`` runs one URL end to end.
"""
