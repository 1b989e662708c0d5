"""HTTP API for the cap pricing tool."""
