pytest_plugins = ["authflow_e2e.pytest_plugin", "pytester"]
