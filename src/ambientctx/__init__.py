"""ambientctx -- Ambient screen context engine for a desktop assistant.

This package periodically samples the user's active screen, describes
each sample with a vision model, and keeps a bounded, memory-only record
of those observations alongside the conversation. When the user asks a
question, the most relevant observations and recent turns are folded into
a single prompt for the conversational model.
"""

__version__ = "0.1.0"
