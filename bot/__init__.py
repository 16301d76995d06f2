"""
Telegram bot package: command handlers, keyboards and the Bot API transport.
"""
