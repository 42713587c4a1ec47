"""
chat_redirects - chat redirect orchestration engine.

Moves ownership of a sector's chats between agents, immediately or over a
scheduled window, and keeps scheduled records consistent with the live
sector overrides in account configuration.
"""
