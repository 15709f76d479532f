from gsc_indexer.cli import run

run()
