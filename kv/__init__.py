"""kv/ -- Durable string-to-string key-value backend for credstore.

Layer rule: kv/ may import auth.exceptions (for BackendError) but nothing
else from auth/. The repository never imports kv/ -- main.py wires them.
"""
