"""
FastAPI routers grouped by audience.

- public: tracking lookup and contact form
- auth: admin login, logout, session check
- admin: package and contact management behind the session gate
"""
