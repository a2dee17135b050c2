"""seisview core."""
