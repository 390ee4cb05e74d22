"""HTTP interface built on FastAPI."""
