"""Confessions API: anonymous submissions and moderation workflow."""
