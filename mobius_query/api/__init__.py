"""Transport, session and configuration helpers for the Mobius3D REST API."""
