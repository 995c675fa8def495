"""auth/ -- Credential store package for credstore.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/
for settings and logging. It does NOT import from kv/ -- the repository
talks to any backend that satisfies the get/set/delete/count/values
contract. kv/ and main.py import from auth/, not the other way around.
"""
