"""Core request pipeline package.

Architectural role:
    Sits between the HTTP/CLI entrypoints and the provider adapters. Owns
    validation, alias normalization, credential resolution, demo mode and the
    dispatch isolation boundary.

Composition:
    - `contracts`: canonical request/response types and error taxonomy.
    - `aliases`: provider alias normalization.
    - `validation`: inbound body validation.
    - `credentials`: credential resolution by fixed priority.
    - `demo`: deterministic synthetic payloads.
    - `engine`: the pipeline and `dispatch`.

Package import itself is side-effect free.
"""
