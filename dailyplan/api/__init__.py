"""HTTP API for dailyplan."""
