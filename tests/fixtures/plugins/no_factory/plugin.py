# Module without get_plugin(); the loader skips it.
VALUE = 1
