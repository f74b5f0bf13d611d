# Utils package initialization file
from utils.graphemes import count_graphemes, is_reaction
from utils.message_sanitizer import sanitize_message

__all__ = ['count_graphemes', 'is_reaction', 'sanitize_message']
