"""Storage API payloads: table previews, loads, unloads, definitions, tokens and workspaces."""

__all__ = ["loadoptions", "preview", "tables", "tokens", "unload", "workspaces"]