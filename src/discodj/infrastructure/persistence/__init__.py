"""JSON-file persistence for room snapshots and saved playlists."""
