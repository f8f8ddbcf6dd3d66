#!/usr/bin/env python3
"""
Test runner for the trivia bot.
Runs all unit and integration tests and prints a summary report.

Usage:
    python tests/run_all_tests.py [category]
"""
import unittest
import sys
import time
from pathlib import Path

# Repository root, so both `triviabot` and `tests` import
sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_MODULES = {
    'Models': 'tests.test_models',
    'ConfigManager': 'tests.test_config_manager',
    'DataManager': 'tests.test_data_manager',
    'UserRegistry': 'tests.test_user_registry',
    'QuizEngine': 'tests.test_quiz_engine',
    'GameSession': 'tests.test_game_session',
    'CommandDispatcher': 'tests.test_command_dispatcher',
    'Discord': 'tests.test_bot_discord_integration',
    'Integration': 'tests.test_integration_comprehensive',
}

CATEGORIES = {
    'unit': ['Models', 'ConfigManager', 'DataManager', 'UserRegistry', 'QuizEngine'],
    'game': ['GameSession', 'CommandDispatcher'],
    'discord': ['Discord'],
    'integration': ['Integration'],
}


def load_suite(components):
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    for component in components:
        module_name = TEST_MODULES[component]
        try:
            suite.addTest(loader.loadTestsFromName(module_name))
            print(f"✓ Loaded tests from {module_name}")
        except Exception as e:
            print(f"✗ Failed to load {module_name}: {e}")
    return suite


def run_test_suite(components=None):
    """Run the selected test modules and print a summary report."""
    components = components or list(TEST_MODULES)
    print("=" * 70)
    print("Trivia Bot - Test Suite")
    print("=" * 70)

    suite = load_suite(components)

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

    for label, problems in (("FAILURES", result.failures), ("ERRORS", result.errors)):
        if problems:
            print("\n" + "-" * 50)
            print(f"{label}:")
            print("-" * 50)
            for test, traceback in problems:
                print(f"\n{test}:")
                print(traceback)

    print("\n" + "=" * 70)
    return failures == 0 and errors == 0


if __name__ == '__main__':
    if len(sys.argv) > 1:
        category = sys.argv[1]
        if category not in CATEGORIES:
            print(f"Unknown category: {category}")
            print(f"Available categories: {', '.join(CATEGORIES)}")
            sys.exit(1)
        success = run_test_suite(CATEGORIES[category])
    else:
        success = run_test_suite()

    sys.exit(0 if success else 1)
