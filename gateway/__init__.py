"""Synthesis gateway package.

Routes one canonical synthesis request (text, image or roadmap) to one of
several structurally incompatible upstream AI provider APIs and returns one
canonical response.
"""
