"""Domain services for the clinic core."""
