"""Storage management module: analytics, health and maintenance actions."""
