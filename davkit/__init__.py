"""
davkit is an asynchronous CalDAV and CardDAV client. It discovers a
server's calendars and address books, fetches and writes their objects and
tells you what changed since you last looked.
"""

__version__ = "0.3.0"

PROJECT_HOME = "https://github.com/davkit/davkit"
BUGTRACKER_HOME = PROJECT_HOME + "/issues"
