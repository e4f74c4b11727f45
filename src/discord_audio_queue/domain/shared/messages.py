"""Centralized message constants for error messages, validation, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"
    INVALID_ID_LIST = "Expected a list of IDs or a comma-separated string of IDs"

    # Track Validation Errors
    EMPTY_TRACK_ID = "Track ID cannot be empty"

    # Search Validation Errors
    INVALID_SEARCH_LIMIT = "Search limit must be at least 1"

    # Queue Validation Errors
    CANNOT_REMOVE_CURRENT = "Position 1 is the track that is playing; use /skip instead"
    POSITION_MUST_BE_POSITIVE = "Position must be 1 or greater."
    PLAYLIST_EMPTY = "The playlist has no playable tracks"

    # Search Session Errors
    SEARCH_NO_PREVIOUS_PAGE = "Already on the first page of results"
    SEARCH_NO_NEXT_PAGE = "Already on the last page of results"

    # Startup Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD__TOKEN environment variable is required"
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Voice Transport
    GUILD_NOT_FOUND = "Guild %s not found"
    CHANNEL_NOT_VOICE = "Channel %s is not a voice channel"
    VOICE_CONNECTED = "Guild %s attached to voice channel %s"
    VOICE_CONNECT_DENIED = "Guild %s could not connect to voice channel %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_MOVED = "Guild %s moved to voice channel %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Voice client error: %r"
    VOICE_STALE_CLEANUP = "Found stale voice client in guild %s, cleaning up"
    VOICE_NOT_CONNECTED = "Not connected to voice in guild %s"
    VOICE_RELEASE_FAILED = "Failed to release voice in guild %s: %s"

    # Playback Operations
    PLAYBACK_PAUSED = "Paused playback in guild %s"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_ERROR = "Playback error in guild %s: %s"
    STREAM_RESOLVE_FAILED = "Could not resolve a stream for '%s' in guild %s: %s"
    TRANSPORT_PLAY_FAILED = "Transport crashed starting '%s' in guild %s"
    TRANSPORT_REJECTED = "Transport rejected '%s' in guild %s, dropping it"
    TRANSPORT_ERROR = "Transport reported an error in guild %s: %s"
    STALE_TRANSPORT_EVENT = "Ignoring stale %s event in guild %s"

    # Track Operations
    TRACK_STARTED = "Started playing '%s' in guild %s via %s"
    TRACK_SKIPPED = "Skipped track '%s' in guild %s"
    TRACK_ENQUEUED = "Enqueued '%s' in guild %s (queue length %s)"
    TRACK_REMOVED = "Removed '%s' from position %s in guild %s"
    TRACK_LOOPING = "Looping '%s' in guild %s"

    # Queue Operations
    QUEUE_CLEARED = "Cleared queue in guild %s (%s tracks removed)"
    QUEUE_SHUFFLED = "Shuffled queue in guild %s (%s upcoming tracks)"
    QUEUE_FINISHED = "Queue finished in guild %s"
    VOLUME_CHANGED = "Volume in guild %s set to %s%%"
    LOOP_TOGGLED = "Loop in guild %s set to %s"

    # Player Registry
    PLAYER_CREATED = "Created player for guild %s"
    PLAYER_DESTROYED = "Destroyed player for guild %s"
    PLAYER_SHUTDOWN_FAILED = "Failed to shut down player for guild %s: %s"
    PLAY_REQUESTED = "Play request in guild %s (%s): %s"
    PLAYLIST_MEMBER_SKIPPED = "Skipping playlist member '%s': %s"

    # Resolution/Search
    STRATEGY_SUCCEEDED = "%s resolved %s for '%s'"
    STRATEGY_FAILED = "%s failed %s for '%s' [%s]: %s"
    STRATEGY_CRASHED = "%s crashed while resolving %s"
    STRATEGY_CLOSE_FAILED = "Failed to close strategy %s: %s"
    COBALT_REQUEST = "Requesting stream from hosted API for %s"
    ALTERNATE_MATCH = "Alternate source for '%s': '%s' (%s)"
    YTDLP_ENTRY_UNPARSEABLE = "Skipping unparseable entry from %s"
    YTDLP_NO_URL_IN_INFO_DICT = "No page URL or title in extractor result"
    YTDLP_NO_STREAM_URL = "No stream URL for %s"
    YTDLP_SEARCH_RESULTS = "%s returned %s results for '%s'"
    PLAYLIST_ENTRY_SKIPPED = "Skipping playlist entry without metadata in %s"
    PLAYLIST_EXPANDED = "Expanded playlist %s into %s tracks"

    # Search Sessions
    SEARCH_SESSION_CREATED = "Created search session %s for user %s (%s results)"
    SEARCH_SESSION_SELECTED = "Search session %s selected '%s'"
    SEARCH_SESSION_CANCELLED = "Search session %s cancelled"
    SEARCH_SESSION_UNAUTHORIZED = "Rejected access to search session %s by user %s"
    SEARCH_PAGE_OUT_OF_RANGE = "Search session %s cannot move %s"
    SEARCH_SESSIONS_SWEPT = "Swept %s expired search sessions"
    SEARCH_SWEEPER_STARTED = "Search session sweeper started"
    SEARCH_SWEEPER_STOPPED = "Search session sweeper stopped"
    SEARCH_SWEEPER_ALREADY_RUNNING = "Search session sweeper already running"

    # Idle Reaper
    IDLE_TIMER_STARTED = "No listeners in guild %s, disconnecting in %ss"
    IDLE_TIMER_CANCELLED = "Idle timer cancelled for guild %s"
    IDLE_TIMER_LISTENERS_BACK = "Listeners returned in guild %s, staying connected"
    IDLE_DISCONNECT = "Disconnecting idle voice connection in guild %s"

    # Application Lifecycle
    BOT_STARTING = "Starting Discord audio queue bot in %s mode"
    BOT_SETUP = "Setting up bot..."
    BOT_CONTAINER_INITIALIZED = "Container initialized successfully"
    BOT_CONTAINER_INIT_FAILED = "Failed to initialize container: %s"
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown did not finish within %ss"
    BOT_VOICE_CLOSE_FAILED = "Failed to close voice client on shutdown: %s"
    BOT_VOICE_DISCONNECTED = "Bot was disconnected from voice in guild %s"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"
    BOT_LEFTOVER_VOICE = "Found voice connection without a player in guild %s"
    BOT_FFMPEG_MISSING = "ffmpeg was not found on PATH; voice playback will fail"
    BOT_RESOLVER_CHAIN = "Resolver chain: %s"

    # Bot Cog Management
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Cogs loaded: %s success, %s failed"

    # Bot Command Sync
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"
    BOT_SYNC_ON_STARTUP_FAILED = "Failed to sync commands on startup: %s"

    # Bot Error Handling
    BOT_SLASH_COMMAND_ERROR = "Slash command error in '%s': %s"
    BOT_SLASH_COMMAND_REJECTED = "Slash command '%s' rejected: %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users in Discord interactions.
    Keep them concise, friendly, and include appropriate emoji.
    """

    # Action Messages
    ACTION_NOW_PLAYING = "🎶 Now playing: **{title}**"
    ACTION_QUEUED = "⏭️ Queued **{title}** at position {position}"
    ACTION_PLAYLIST_QUEUED = "📜 Added **{count}** tracks from the playlist"
    ACTION_PLAYLIST_SKIPPED_SUFFIX = " ({skipped} skipped)"
    ACTION_PAUSED = "⏸️ Paused"
    ACTION_RESUMED = "▶️ Resumed"
    ACTION_SKIPPED = "⏭️ Skipped **{title}**"
    ACTION_STOPPED = "⏹️ Stopped playback and left the voice channel"
    ACTION_QUEUE_CLEARED = "🗑️ Cleared {count} tracks from the queue"
    ACTION_TRACK_REMOVED = "🗑️ Removed **{title}**"
    ACTION_SHUFFLED = "🔀 Shuffled the queue"
    ACTION_LOOP_ON = "🔂 Looping the current track"
    ACTION_LOOP_OFF = "➡️ Loop disabled"
    ACTION_VOLUME_SET = "🔊 Volume set to {volume}%"

    # Utility Messages
    PONG = "{emoji} Pong: {latency_ms} ms"

    # State Messages
    STATE_SERVER_ONLY = "This command can only be used in a server."
    STATE_VERIFY_VOICE_FAILED = "Could not verify your voice state."
    STATE_NEED_TO_BE_IN_VOICE = "You need to be in a voice channel."
    STATE_MUST_BE_IN_VOICE = "You must be in the same voice channel as the bot."
    STATE_NOTHING_PLAYING = "Nothing is playing."
    STATE_NOT_PLAYING = "Nothing is playing right now."
    STATE_NOT_PAUSED = "Playback is not paused."
    STATE_NOT_CONNECTED_TO_VOICE = "I'm not connected to a voice channel."
    STATE_QUEUE_EMPTY = "The queue is empty."
    STATE_QUEUE_ALREADY_EMPTY = "There are no upcoming tracks to clear."
    STATE_NOT_ENOUGH_TRACKS_TO_SHUFFLE = "Need at least two upcoming tracks to shuffle."

    # Search Messages
    SEARCH_CANCELLED = "❌ Search cancelled."
    SEARCH_EXPIRED = "⌛ This search has expired. Run /search again."
    SEARCH_PAGE_FOOTER = "Page {page}/{total_pages} · {total} results"
    UNKNOWN_UPLOADER = "Unknown uploader"

    # Embed Titles
    EMBED_NOW_PLAYING = "🎵 Now Playing"
    EMBED_QUEUE = "📋 Queue ({total_tracks} tracks) · Page {page}/{total_pages}"
    EMBED_SEARCH_RESULTS = "🔎 Results for: {query}"
    EMBED_HELP = "🎵 Commands"
    EMBED_HELP_FOOTER = "Join a voice channel and use /play to get started!"

    # Error Messages
    ERROR_GENERIC = "❌ {error}"
    ERROR_UNEXPECTED = "❌ Something went wrong. Please try again."
