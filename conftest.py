"""
Root pytest configuration.

Its presence makes pytest put the repository root on `sys.path`, so the test
modules can import the package as `src.nnlib` without installing it, the same
way `python -m unittest discover` run from the root does.
"""
