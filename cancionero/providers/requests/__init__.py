"""Song request queue persistence providers."""
