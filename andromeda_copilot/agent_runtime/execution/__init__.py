"""Execution pipeline for the copilot.

- **environment**: Workspace path bounds, shell selection and runtime probing
- **tools**: The tool catalog exposed to the model
- **prompt**: System prompt rendering (Jinja2 templates)
- **runtime**: Conversation loop around a pydantic-ai agent
"""
