pytest_plugins = ["gateway_e2e.fixtures", "pytester"]
