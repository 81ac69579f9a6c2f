"""Background jobs: block scheduler, health server and Dramatiq tasks."""
