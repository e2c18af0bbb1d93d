"""Command-line interface (`vtodo ...`)."""
