"""agentmem: persistent typed memory for a conversational agent."""

__version__ = "0.1.0"
