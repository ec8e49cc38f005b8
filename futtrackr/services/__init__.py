"""Analytics services for FUTTrackr."""
