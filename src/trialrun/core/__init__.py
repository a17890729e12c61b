"""
The test execution engine: assertions, the test state machine, dependency
scheduling and the runner.
"""
