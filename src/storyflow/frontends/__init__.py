"""User-facing frontends for storyflow."""
