"""HTTP service exposing decision extraction."""
