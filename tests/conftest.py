pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.values',
]
