"""core/ -- Kernel: application settings. Imports nothing from auth/ or kv/."""
