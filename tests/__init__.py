"""Tests - pytest suite for the primitives, device and backend packages."""
