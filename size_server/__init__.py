"""Roll-your-size chat command service."""
