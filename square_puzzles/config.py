"""
Configuration settings for Square Puzzles server
"""
import os

# Database settings
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/square_puzzles.db")

# Frontend / sharing
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Admin access (empty disables admin routes)
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Puzzle settings
MIN_GRID_SIZE = 3
MAX_GRID_SIZE = 10
DEFAULT_GRID_SIZE = 5
MAX_DAILY_MESSAGE_LENGTH = 500
MAX_CLUE_LENGTH = 250
MAX_REPORT_TEXT_LENGTH = 1000
MAX_ANNOUNCEMENT_TITLE_LENGTH = 100

# Pagination
HISTORY_PAGE_SIZE = 10
ADMIN_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Server settings
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))
