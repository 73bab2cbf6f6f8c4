"""Runtime discovery and SonarQube rule-profile import for the Gherkin analyzer."""

__version__ = "1.0.0"
