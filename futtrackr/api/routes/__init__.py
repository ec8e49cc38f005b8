"""API routes for FUTTrackr."""
