"""Discord-authenticated upload API for the Wasabi soundboard."""
