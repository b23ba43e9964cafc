#!/usr/bin/env python3
import unittest
import sys
import os

def run_tests(pattern='test_*.py'):
    """Run the unittest-style test cases"""
    # Add project root to path
    sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))
    os.environ.setdefault('DATABASE_URL', 'sqlite://')

    # Discover and run tests
    loader = unittest.TestLoader()
    start_dir = os.path.join(os.path.dirname(__file__), 'tests')
    suite = loader.discover(start_dir, pattern=pattern)

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()

if __name__ == '__main__':
    success = run_tests(*sys.argv[1:2])
    sys.exit(0 if success else 1)
