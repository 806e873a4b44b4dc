from lnurlbot.db import Database

db = Database("database")
