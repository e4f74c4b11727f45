"""Application services: guild players, the playback registry, search sessions and idle reaping."""
