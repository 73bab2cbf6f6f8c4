from gherkin_analyzer.cli import cli

cli()
