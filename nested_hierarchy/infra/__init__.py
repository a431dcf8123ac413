"""Infrastructure: logging and database engine wiring."""
