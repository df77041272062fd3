"""Text classification for ticket routing and triage advice."""
