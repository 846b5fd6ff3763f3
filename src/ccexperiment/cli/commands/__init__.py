"""Commands registered on the ccx application."""
