"""Services behind the app layer: git, discovery, persistence, platform."""
