from dockerproxy.tests.fixtures_clients import *  # noqa
