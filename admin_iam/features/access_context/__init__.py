"""
Admin UI bootstrap: who am I and what may I see.
"""
