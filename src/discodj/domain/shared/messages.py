"""Centralized message constants for error messages, log lines, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Track Validation Errors
    PLACEHOLDER_NEEDS_QUERY = "A track without a URL needs a lazy query"
    TRACK_NOT_PLACEHOLDER = "Track is not a placeholder"
    TRACK_ALREADY_RESOLVED = "Track has already been resolved"

    # Queue / Playback Validation Errors
    INVALID_VOLUME = "Volume must be between 0 and 200"
    INVALID_TIMESTAMP = "Timestamp must look like 90, 1:30 or 1:02:03"
    NOTHING_PLAYING = "Nothing is playing"
    NOTHING_TO_GO_BACK_TO = "There is no previous track"
    SEEK_BEYOND_END = "Cannot seek past the end of the track ({duration})"

    # Playlist Errors
    PLAYLIST_NOT_FOUND = "No playlist named '{name}'"
    PLAYLIST_NOTHING_TO_SAVE = "There is nothing to save"

    # Settings Validation Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    # Audio/Stream Errors
    NO_STREAM_URL_FOR_TRACK = "No stream URL found for {title}"
    RESOLVER_TIMEOUT = "Lookup timed out after {timeout}s"

    # Startup Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD__TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Serial Executor
    EXECUTOR_TASK_FAILED = "Serialized %s for room %s failed: %r"
    EXECUTOR_DRAINED = "Executor queue for room %s drained"

    # Best-effort boundary
    BEST_EFFORT_FAILED = "Best-effort %s failed in room %s: %r"

    # Progress Ticker
    TICKER_STARTED = "Progress ticker started for room %s"
    TICKER_STOPPED = "Progress ticker stopped for room %s"
    TICKER_ALREADY_RUNNING = "Progress ticker already running for room %s"

    # Voice Connection
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_MOVED = "Moved to voice channel %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_STALE_CLEANUP = "Found stale voice client in guild %s, cleaning up"
    VOICE_LISTENER_WIRED = "Status listener wired for room %s"
    VOICE_LISTENER_REPLACED = "Replaced status listener for room %s"

    # Playback
    PLAYBACK_STARTED = "Started playing '%s' in guild %s (offset=%ss)"
    PLAYBACK_STOPPED = "Stopped playback in guild %s"
    PLAYBACK_PAUSED = "Paused playback in guild %s"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_AUTO_PAUSED = "Auto-paused playback in guild %s (no listeners)"
    PLAYBACK_ERROR = "Playback error in guild %s: %s"
    PLAYBACK_FAILED_START = "Failed to start '%s' in guild %s (attempt %d): %s"
    PLAYBACK_GIVING_UP = "Giving up in guild %s after %d consecutive failures"
    PLAYBACK_IDLE = "Queue empty in guild %s, going idle"
    PLAYBACK_STALE_EVENT = "Ignoring stale %s event for guild %s"
    PLAYBACK_SEEK = "Seeking to %ss in guild %s"
    PLAYBACK_FILTER = "Applying filter %s in guild %s"
    PLAYBACK_VOLUME = "Volume set to %s%% in guild %s"
    PLAYBACK_AUTO_LEAVE = "No listeners left in guild %s, leaving"
    PLAYBACK_SHUTDOWN = "Persisted and disconnected %d rooms on shutdown"

    # Track lifecycle
    TRACK_ENDED = "Track ended in guild %s (error: %s)"
    TRACK_FINISHED = "Track finished: %s in guild %s"
    TRACK_AUTOPLAY_PICKED = "Autoplay picked '%s' in guild %s"
    TRACK_AUTOPLAY_NONE = "Autoplay found nothing related to '%s'"
    TRACK_PLACEHOLDER_RESOLVED = "Resolved placeholder '%s' -> %s"

    # Queue
    QUEUE_ENQUEUED = "Enqueued %d track(s) at position %s in guild %s"
    QUEUE_REMOVED = "Removed track '%s' from queue in guild %s"
    QUEUE_CLEARED = "Cleared %s tracks from queue in guild %s"
    QUEUE_SHUFFLED = "Shuffled queue in guild %s"
    QUEUE_MOVED = "Moved track from %s to %s in guild %s"
    QUEUE_JUMPED = "Jumped to queue index %s in guild %s"
    LOOP_MODE_CHANGED = "Loop mode changed to %s in guild %s"

    # Panel
    PANEL_SKIPPED_UNCHANGED = "Panel unchanged for guild %s, skipping edit"
    PANEL_SUPERSEDED = "Panel push v%s superseded by v%s in guild %s"
    PANEL_RECREATED = "Panel message missing in guild %s, sent a new one"
    PANEL_EDIT_FAILED = "Failed editing panel %s in channel %s: %r"
    PANEL_NO_CHANNEL = "No channel available for panel in guild %s"

    # Persistence
    STORE_SAVED = "Saved room snapshot for guild %s"
    STORE_LOAD_FAILED = "Unreadable snapshot %s, using defaults: %r"
    STORE_FIELD_DEFAULTED = "Snapshot field '%s' invalid for guild %s, using default"
    PLAYLIST_SAVED = "Saved playlist '%s' (%d tracks) for guild %s"
    PLAYLIST_DELETED = "Deleted playlist '%s' for guild %s"

    # Cache
    CACHE_HIT_URL = "Cache hit for URL: %s"

    # Resolver
    YTDLP_FAILED_EXTRACT_INFO = "Failed to extract info from %s"
    YTDLP_FAILED_SEARCH = "Failed to search for %r"
    YTDLP_FAILED_EXTRACT_PLAYLIST = "Failed to extract playlist from %s"
    YTDLP_RETRY = "Lookup for %s failed (attempt %d/%d), retrying in %.2fs: %r"
    YTDLP_NO_STREAM_URL = "No stream URL found for %s"
    SPOTIFY_DISABLED = "Spotify credentials not set; Spotify links are disabled"
    SPOTIFY_FAILED = "Spotify lookup failed for %s: %r"

    # FFmpeg
    FFMPEG_SOURCE_CREATED = "Created FFmpeg source for '%s' (seek=%ss, filter=%s)"

    # Bot lifecycle
    BOT_STARTING = "Starting discodj in {environment} mode"
    BOT_SETUP = "Setting up bot..."
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown exceeded %ss, forcing exit"
    BOT_CONTROLLER_SHUTDOWN_ERROR = "Error during playback shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Cogs loaded: %s success, %s failed"
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"
    BOT_SLASH_COMMAND_ERROR = "Slash command error in '%s': %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"
    BOT_PANEL_VIEW_REGISTERED = "Registered persistent panel view"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users in Discord interactions.
    Keep them concise, friendly, and include appropriate emoji.
    """

    # State
    STATE_SERVER_ONLY = "This command only works in a server."
    STATE_VERIFY_VOICE_FAILED = "I couldn't verify your voice state."
    STATE_NEED_TO_BE_IN_VOICE = "Join a voice channel first."
    STATE_MUST_BE_IN_VOICE = "You must be in my voice channel to do that."

    # Errors
    ERROR_COULD_NOT_JOIN_VOICE = "I couldn't join your voice channel."
    ERROR_TRACK_NOT_FOUND = "Couldn't find anything for: {query}"
    ERROR_GENERIC = "❌ Something went wrong. Please try again."
    ERROR_DJ_ONLY = "\U0001f512 DJ-only mode is on. You need the **{role}** role."
    ERROR_TOO_MANY_FAILURES = (
        "⚠️ Too many tracks failed to play in a row. Playback stopped."
    )

    # Actions
    ACTION_JOINED = "\U0001f50a Joined **{channel}**."
    ACTION_QUEUED_ONE = "➕ Queued **{title}** at position {position}."
    ACTION_QUEUED_MANY = "➕ Queued **{count}** tracks starting at position {position}."
    ACTION_SKIPPED = "⏭️ Skipped."
    ACTION_PREVIOUS = "⏮️ Going back."
    ACTION_PAUSED = "⏸️ Paused."
    ACTION_RESUMED = "▶️ Resumed."
    ACTION_STOPPED = "⏹️ Stopped and cleared the queue."
    ACTION_DISCONNECTED = "\U0001f44b Left the voice channel."
    ACTION_VOLUME = "\U0001f50a Volume set to **{volume}%**."
    ACTION_SEEK = "⏩ Seeked to **{position}**."
    ACTION_SHUFFLED = "\U0001f500 Shuffled {count} tracks."
    ACTION_LOOP = "\U0001f501 Loop mode: **{mode}**."
    ACTION_AUTOPLAY = "\U0001f4fb Autoplay is now **{state}**."
    ACTION_DJ_ONLY = "\U0001f512 DJ-only mode is now **{state}**."
    ACTION_FILTER = "\U0001f39b️ Filter: **{name}**."
    ACTION_JUMPED = "⏭️ Jumping to **{title}**."
    ACTION_REMOVED = "\U0001f5d1️ Removed **{title}**."
    ACTION_MOVED = "↕️ Moved **{title}** to position {position}."
    ACTION_CLEARED = "\U0001f9f9 Cleared {count} tracks from the queue."
    ACTION_PANEL_POSTED = "\U0001f4cb Panel posted."

    # Playlists
    PLAYLIST_SAVED = "\U0001f4be Saved playlist **{name}** ({count} tracks)."
    PLAYLIST_LOADED = "\U0001f4c2 Loaded **{count}** tracks from **{name}**."
    PLAYLIST_DELETED = "\U0001f5d1️ Deleted playlist **{name}**."
    PLAYLIST_NONE = "No saved playlists."
    PLAYLIST_LIST_HEADER = "\U0001f4da **Saved playlists**"
    PLAYLIST_LIST_LINE = "• **{name}** · {count} tracks · saved {saved_at}"

    # Panel
    PANEL_TITLE_PLAYING = "\U0001f3b6 Now Playing"
    PANEL_TITLE_PAUSED = "⏸️ Paused"
    PANEL_TITLE_AUTO_PAUSED = "\U0001f4a4 Paused (no listeners)"
    PANEL_TITLE_IDLE = "\U0001f3b5 Nothing playing"
    PANEL_IDLE_DESCRIPTION = "Use `/play` to queue something."
    PANEL_UP_NEXT = "⏭️ Up next"
    PANEL_UP_NEXT_EMPTY = "Queue is empty."
    PANEL_PAGE_FOOTER = "Page {page}/{pages} · {count} queued"
    PANEL_FIELD_REQUESTED_BY = "\U0001f464 Requested by"
    PANEL_FIELD_DURATION = "\u23f1\ufe0f Duration"
    PANEL_FIELD_SETTINGS = "\u2699\ufe0f Settings"
    PANEL_UNKNOWN_REQUESTER = "Unknown"
    PANEL_UP_NEXT_LINE = "`{position}.` {title}{duration} \u00b7 in {eta}"
    PANEL_FILTER_NONE = "none"
    PANEL_SETTINGS_LINE = "Loop: {loop} · Autoplay: {autoplay} · Volume: {volume}% · Filter: {filter}"

    BUTTON_PREV = "⏮️"
    BUTTON_PAUSE = "⏸️"
    BUTTON_RESUME = "▶️"
    BUTTON_SKIP = "⏭️"
    BUTTON_STOP = "⏹️"
    BUTTON_PAGE_PREV = "◀"
    BUTTON_PAGE_NEXT = "▶"
