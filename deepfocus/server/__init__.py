"""HTTP API: FastAPI app, bearer-token auth, and the watch-history store."""
