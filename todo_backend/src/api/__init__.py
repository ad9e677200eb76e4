"""
FastAPI Todo Backend package.

This module marks the 'src.api' directory as a Python package. The FastAPI
app lives in `src.api.main`; the todo lifecycle can also be used without HTTP
through `src.api.lifecycle.get_todo_service`, including guest mode backed by a
local key-value store.
"""
