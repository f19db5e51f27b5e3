"""Business rules for registration, login, refresh rotation and logout."""
