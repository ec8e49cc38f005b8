"""HTTP adapter for the FUTTrackr analytics engine."""
