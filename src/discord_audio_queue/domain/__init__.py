"""
Domain Layer

Contains pure business logic organized by bounded contexts:
- music: tracks, the playback queue and its state machine, query classification
- search: paged, owner-bound search sessions
- shared: exceptions, validated types and message constants
"""
