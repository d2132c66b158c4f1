"""
Application Layer

Orchestrates domain objects and infrastructure to fulfil playback use cases.

Structure:
- interfaces/: Port interfaces for infrastructure adapters
- services/: Serial executor, playback controller, panel rendering and sync
"""
