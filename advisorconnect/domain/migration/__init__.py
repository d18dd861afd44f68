"""One-time transfer of browser-local scheduling data into the database"""
