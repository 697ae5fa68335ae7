"""Service layer coordinating storage, the database and remote systems."""
