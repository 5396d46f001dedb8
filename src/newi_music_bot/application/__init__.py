"""
Application Layer

Services that apply user intents and engine events to playback sessions.

Structure:
- services/: Session registry, player controls and track-event handling
- interfaces/: Port interfaces for the audio engine and the status message
"""
