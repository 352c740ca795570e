from app.tests.fixtures_upstream import *  # noqa
