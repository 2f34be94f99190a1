"""
gptbridge

Chat bridge between a chat platform and a GPT-trainer chatbot, with
function calling routed to local chat actions or a remote automation server.
"""

__version__ = "1.0.0"
