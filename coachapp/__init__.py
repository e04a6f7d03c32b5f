"""Coaching session booking and payment backend."""
