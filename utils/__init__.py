"""Password hashing, token signing and request decorators."""
