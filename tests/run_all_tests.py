#!/usr/bin/env python3
"""
Test runner for the question bank.
Runs all unit tests, or a single category given on the command line.
"""
import sys
import time
import unittest
from pathlib import Path

# Make the repository root importable when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

CATEGORIES = {
    'unit': [
        'tests.test_validator',
        'tests.test_quiz_engine',
        'tests.test_stats_tracker',
        'tests.test_data_manager',
        'tests.test_config_manager',
        'tests.test_quiz_controller',
    ],
    'discord': ['tests.test_bot_discord_integration'],
    'cli': ['tests.test_main'],
    'validator': ['tests.test_validator'],
    'engine': ['tests.test_quiz_engine'],
    'stats': ['tests.test_stats_tracker'],
    'data': ['tests.test_data_manager'],
    'config': ['tests.test_config_manager'],
    'controller': ['tests.test_quiz_controller'],
}


def load_suite(module_names):
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    for module_name in module_names:
        try:
            suite.addTest(loader.loadTestsFromName(module_name))
            print(f"✓ Loaded tests from {module_name}")
        except Exception as e:
            print(f"✗ Failed to load {module_name}: {e}")
    return suite


def run_test_suite():
    """Run the complete test suite and print a summary report."""
    print("=" * 70)
    print("Question Bank - Test Suite")
    print("=" * 70)

    suite = load_suite(CATEGORIES['unit'] + CATEGORIES['discord'] + CATEGORIES['cli'])

    print("\n" + "=" * 70)
    print("Running Tests...")
    print("=" * 70)

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    end_time = time.time()

    print("\n" + "=" * 70)
    print("Test Summary Report")
    print("=" * 70)

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print(f"Total Tests Run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")
    print(f"Success Rate: {(passed/total_tests)*100:.1f}%" if total_tests > 0 else "N/A")
    print(f"Execution Time: {end_time - start_time:.2f} seconds")

    return result.wasSuccessful()


def run_specific_test_category(category):
    """Run tests for a specific category."""
    if category not in CATEGORIES:
        print(f"Unknown category: {category}")
        print(f"Available categories: {', '.join(CATEGORIES.keys())}")
        return False

    print(f"Running {category} tests...")
    result = unittest.TextTestRunner(verbosity=2).run(load_suite(CATEGORIES[category]))
    return result.wasSuccessful()


if __name__ == '__main__':
    if len(sys.argv) > 1:
        success = run_specific_test_category(sys.argv[1])
    else:
        success = run_test_suite()

    sys.exit(0 if success else 1)
