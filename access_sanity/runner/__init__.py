"""Access test runner: check expected access outcomes and group memberships.

Entry point: ``access_sanity.runner.runner.run_tests()``
"""
