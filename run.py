#!/usr/bin/env python3
"""Run script for dailyplan."""

import uvicorn

from dailyplan.config import DEBUG

if __name__ == "__main__":
    uvicorn.run(
        "dailyplan.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=DEBUG
    )
