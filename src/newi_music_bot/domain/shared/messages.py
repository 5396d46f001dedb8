"""Centralized message constants for error messages, log templates, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive and below 2^64"

    # Queue Errors
    QUEUE_FULL = "Queue is full (max {limit} tracks)"
    JUMP_OUT_OF_RANGE = "No track at that position"

    # Audio Engine Errors
    ENGINE_NO_NODE = "No Lavalink node is available"
    ENGINE_NO_PLAYER = "No player exists for guild {guild_id}"
    ENGINE_CHANNEL_NOT_FOUND = "Voice channel {channel_id} was not found"
    ENGINE_CALL_FAILED = "Audio engine call '{operation}' failed: {error}"

    # Settings Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Authentication/Bootstrap Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD__TOKEN environment variable is required"
    LAVALINK_HOST_REQUIRED = "LAVALINK__HOST must not be empty"
    LAVALINK_PASSWORD_REQUIRED = "LAVALINK__PASSWORD must not be empty"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates.

    Pass values as logger arguments so formatting stays lazy.
    """

    # Event Bus
    EVENT_HANDLER_FAILED = "Error in handler for %s"

    # Sessions
    SESSION_CREATED = "Created playback session for guild %s"
    SESSION_REMOVED = "Removed playback session for guild %s"
    SESSION_TEARDOWN_FAILED = "Teardown failed for guild %s: %s"

    # Safe Transport
    TRANSPORT_MESSAGE_GONE = "Message %s already gone, skipping %s"
    TRANSPORT_RATE_LIMITED = "Rate limited on %s, retrying in %.2fs"

    # Now-Playing Panel
    NOW_PLAYING_SENT = "Sent now-playing message %s in guild %s"
    NOW_PLAYING_SEND_FAILED = "Failed to send now-playing message in guild %s: %s"
    NOW_PLAYING_STALE = "Now-playing message in guild %s is older than %ss, recreating"
    NOW_PLAYING_LOST = "Now-playing message in guild %s was deleted, will recreate"
    NOW_PLAYING_NO_CHANNEL = "No text channel for guild %s, skipping refresh"
    NOW_PLAYING_REFRESH_FAILED = "Refresh failed for guild %s"
    NOW_PLAYING_PERIODIC_ENDED = "Periodic refresh ended for guild %s"
    NOW_PLAYING_CLEAR_CONTROLS_FAILED = "Could not clear controls in guild %s: %s"
    NOW_PLAYING_STOPPED_RENDER_FAILED = "Could not render stopped panel in guild %s: %s"
    BUTTON_HANDLER_FAILED = "Button '%s' failed in guild %s"
    BUTTON_COOLDOWN = "Ignoring '%s' from user %s (cooldown)"
    BUTTON_ACK_FAILED = "Could not acknowledge button '%s': %s"
    STOP_CONFIRM_EXPIRED = "Stop confirmation expired in guild %s, restoring controls"
    NOTICE_SEND_FAILED = "Failed to post notice in guild %s: %s"

    # Player Controls
    PLAYBACK_PAUSED = "Paused playback in guild %s at %sms"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_AUTO_STOP = "Guild %s stayed paused for %ss, stopping playback"
    PLAYBACK_STOPPED = "Stopped playback in guild %s"
    PLAYBACK_ENGINE_STOP_FAILED = "Engine stop failed in guild %s: %s"
    PLAYBACK_VOLUME_RESET_FAILED = "Could not reset volume in guild %s: %s"
    TRACK_SKIPPED = "Skipped track in guild %s"
    TRACK_PREVIOUS = "Went back to '%s' in guild %s"
    TRACK_JUMPED = "Jumped to '%s' (index %d) in guild %s"
    QUEUE_SHUFFLED = "Shuffled %d tracks in guild %s"
    QUEUE_CLEARED = "Cleared %d queued and history tracks in guild %s"
    PLAYBACK_SPEED_SET = "Set playback speed to %sx in guild %s"

    # Playback Events
    TRACK_STARTED = "Started playing: %s in guild %s"
    TRACK_ENDED = "Track '%s' ended in guild %s (reason=%s)"
    TRACK_FAILED = "Track '%s' failed in guild %s: %s"
    TRACK_PLAY_FAILED = "Could not start '%s' in guild %s: %s"
    QUEUE_ENDED = "Queue ended in guild %s"

    # Reconnect & Health
    NODE_CONNECTED = "Lavalink node %s connected"
    NODE_DOWN = "Lavalink node %s is down: %s"
    NODE_CLEANUP_IN_PROGRESS = "Cleanup already running for node %s, ignoring '%s'"
    NODE_CLEANUP_SESSION = "Cleaning up guild %s after node %s went down (%s)"
    NODE_CLEANUP_SESSION_FAILED = "Cleanup failed for guild %s, forcing teardown"
    NODE_CLEANUP_FORCE_FAILED = "Forced teardown for guild %s hit an error: %s"
    NODE_CLEANUP_DONE = "Node %s cleanup finished: %d session(s) removed"
    NODE_RECONNECT_SCHEDULED = "Reconnecting node %s in %.1fs (attempt %d/%d)"
    NODE_RECONNECT_FAILED = "Reconnect attempt %d for node %s failed: %s"
    NODE_RECONNECT_ABANDONED = "Giving up on node %s after %d attempts"
    HEALTH_QUICK_FAILED = "Quick health check: node %s is not connected"
    HEALTH_DEEP_FAILED = "Deep health check failed for node %s: %s"
    HEALTH_MONITOR_STARTED = "Health monitor started (quick=%ss, deep=%ss)"
    HEALTH_MONITOR_STOPPED = "Health monitor stopped"
    HEALTH_CHECK_ERROR = "Unexpected error in %s health check"
    AUTO_RESUME = "Auto-resuming '%s' in guild %s"
    AUTO_RESUME_FAILED = "Auto-resume failed in guild %s: %s"

    # Audio Engine
    ENGINE_NODE_CREATED = "Created Lavalink node %s at %s:%s"
    ENGINE_VOICE_CONNECTED = "Connected to voice channel %s in guild %s"
    ENGINE_DISCONNECT_PRIMARY_FAILED = "Player disconnect failed in guild %s: %s"
    ENGINE_DISCONNECT_FALLBACK_FAILED = "Voice client force-disconnect failed in guild %s: %s"
    ENGINE_DESTROY_FAILED = "Destroying player in guild %s failed: %s"

    # Cleanup
    CLEANUP_STARTED = "Cleanup manager started"
    CLEANUP_STOPPED = "Cleanup manager stopped"
    CLEANUP_ALREADY_RUNNING = "Cleanup manager is already running"
    CLEANUP_STALE_REMOVED = "Removed %d stale tracked message(s)"
    CLEANUP_ORPHAN_REMOVED = "Removed orphaned player for guild %s (%s)"
    CLEANUP_ORPHAN_FAILED = "Failed to remove orphaned player for guild %s: %s"
    CLEANUP_SWEEP_FAILED = "Error during %s sweep"

    # Guild / Voice Events
    VOICE_BOT_REMOVED = "Bot left voice in guild %s, tearing down session"
    GUILD_REMOVED = "Left guild: %s (%s)"

    # Bot Lifecycle
    BOT_SETUP = "Setting up bot..."
    BOT_CONTAINER_INITIALIZED = "Container initialized"
    BOT_CONTAINER_INIT_FAILED = "Failed to initialize container: %s"
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Loaded %d cog(s), %d failed"
    BOT_SLASH_COMMAND_ERROR = "Slash command '%s' failed: %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync commands to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"
    BOT_SYNC_ON_STARTUP_FAILED = "Command sync on startup failed: %s"
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_READY = "Logged in as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %d guild(s)"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_CLEANUP_STOP_ERROR = "Error stopping cleanup manager: %s"
    BOT_CONTAINER_SHUTDOWN = "Container shut down"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error shutting down container: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown timed out after %ss"
    BOT_STARTING = "Starting newi music bot in {environment} mode"
    BOT_STARTING_RUN = "Starting bot run loop"
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt"
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_LAVALINK_TARGET = "Lavalink node %s at %s"
    SETTINGS_INVALID = "Invalid settings: %s"
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"


class DiscordUIMessages:
    """User-facing Discord messages and responses."""

    # Now-Playing Panel
    EMBED_STOPPED_TITLE = "Playback Stopped"
    EMBED_QUEUE_FIELD = "Queue"
    EMBED_QUEUE_EMPTY = "No additional tracks."
    EMBED_QUEUE_MORE = "\u2002\u2004*… and `{count}` more track{plural}.*"
    EMBED_FOOTER = (
        "{status}  •  Use {prefix}search <song> for multiple results, "
        "{prefix}play <song> to play directly."
    )
    BUTTON_CONFIRM_STOP = "Confirm Stop"
    BUTTON_CANCEL_STOP = "Cancel"
    BUTTON_SHUFFLE = "Shuffle"

    # Playback Notices (plain chat messages)
    NOTICE_TRACK_UNAVAILABLE = "The track **{title}** is unavailable."
    NOTICE_TRACK_ERROR = "An error occurred while playing **{title}**:\n`{error}`"
    NOTICE_LOAD_FAILED = "Track **{title}** ended unexpectedly (failed to load)."

    # Action Messages
    ACTION_NOW_PLAYING = "▶️ Now playing **{title}**."
    ACTION_QUEUED = "➕ Queued **{title}** at position {position}."
    ACTION_PLAYLIST_QUEUED = "➕ Queued {count} track(s) from **{name}**."
    ACTION_PLAYLIST_TRUNCATED = " {dropped} track(s) did not fit in the queue."
    ACTION_PAUSED = "⏸️ Paused playback."
    ACTION_RESUMED = "▶️ Resumed playback."
    ACTION_SKIPPED = "⏭️ Skipped."
    ACTION_PREVIOUS = "⏮️ Playing previous track **{title}**."
    ACTION_STOPPED = "⏹️ Stopped playback and cleared the queue."
    ACTION_SHUFFLED = "\U0001f500 Shuffled the queue."
    ACTION_JUMPED = "↪️ Jumped to **{title}**."
    ACTION_VOLUME_SET = "\U0001f50a Volume set to {volume}%."
    ACTION_SEEKED = "⏩ Seeked to {position}."
    ACTION_SPEED_SET = "⏩ Speed set to {speed}x."
    ACTION_QUEUE_CLEARED = "\U0001f9f9 Queue cleared."
    ACTION_CLEAR_CANCELLED = "Clear cancelled."
    ACTION_DISCONNECTED = "\U0001f44b Disconnected from voice channel."
    ACTION_PANEL_REFRESHED = "Now-playing panel refreshed."

    # Search
    SEARCH_PROMPT = "\U0001f50d Results for **{query}**. Pick a track:"
    SEARCH_PLACEHOLDER = "Choose a track"
    SEARCH_EXPIRED = "Search expired."

    # Queue Listing
    EMBED_QUEUE_TITLE = "Current Queue"
    EMBED_QUEUE_NOW = "**Now Playing:** {title}"
    EMBED_QUEUE_UPCOMING = "Upcoming Tracks"
    EMBED_QUEUE_HISTORY = "History"
    QUEUE_NO_UPCOMING = "No upcoming tracks."
    QUEUE_NO_HISTORY = "No previous tracks."

    # Clear Confirmation
    CLEAR_PROMPT = "Are you sure you want to clear the queue and history? (This will leave the current track playing.)"
    BUTTON_CONFIRM_CLEAR = "Confirm Clear"
    BUTTON_CANCEL_CLEAR = "Cancel"

    # Playlist
    EMBED_PLAYLIST_TITLE = "Current Playlist"
    EMBED_PLAYLIST_FOOTER = "Page {page} / {pages}\u2002•\u2002Use \"{prefix}jump <number>\" to jump to a track."
    BUTTON_PAGE_PREVIOUS = "Previous"
    BUTTON_PAGE_REFRESH = "Refresh"
    BUTTON_PAGE_NEXT = "Next"

    # Error Messages
    ERROR_OCCURRED = "❌ An error occurred: {error}"
    ERROR_ENGINE_RETRY = "❌ The audio server did not respond. Please try again in a moment."
    ERROR_NO_RESULTS = "No results found for: {query}"
    ERROR_NO_PREVIOUS = "There is no previous track."
    ERROR_INVALID_TIMESTAMP = "❌ Invalid timestamp. Use seconds, mm:ss or hh:mm:ss."
    ERROR_PANEL_BUSY = "The now-playing panel is already refreshing."
    ERROR_PANEL_FAILED = "Could not post the now-playing panel in this channel."

    # State Messages
    STATE_NOTHING_PLAYING = "Nothing is playing."
    STATE_NOT_ENOUGH_TRACKS_TO_SHUFFLE = "Not enough tracks to shuffle."
    STATE_QUEUE_EMPTY = "Queue is empty."
    STATE_NOTHING_TO_CLEAR = "There is no queue or history to clear."
    STATE_NOT_CONNECTED_TO_VOICE = "Not connected to a voice channel."
    STATE_MUST_BE_IN_VOICE = "You must be in a voice channel to use this command!"
    STATE_SERVER_ONLY = "This command can only be used in a server."
    STATE_VERIFY_VOICE_FAILED = "Could not verify your voice state."
