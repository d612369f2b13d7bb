"""Server-rendered admin UI.

A thin collaborator of the gateway:
- served by the same FastAPI app
- plain HTML forms + redirects, no client-side framework
- every action goes through the proxy dispatcher

Auth: the session token lives in an HttpOnly cookie set by /ui/login.
"""
