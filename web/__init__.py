"""HTTP layer for Timin. Build the app with web.main.create_app()."""
