def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: test drives real loopback sockets and threads"
    )
