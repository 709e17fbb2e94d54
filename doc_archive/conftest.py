import os
import tempfile

# Keep this conftest small: it isolates the process environment before any
# doc_archive module is imported. Per-test fixtures (temp DB, manifest, app,
# client) live in `doc_archive/tests/conftest.py`.
#
# `doc_archive.app` builds a module-level app on import, which creates the
# schema at DATABASE_PATH and opens the rotating log file, so both must point
# at throwaway locations before collection imports it.
_session_dir = tempfile.mkdtemp(prefix='doc_archive_pytest_')
os.environ['DATABASE_PATH'] = os.path.join(_session_dir, 'archive.db')
os.environ['MANIFEST_PATH'] = os.path.join(_session_dir, 'manifest.json')
os.environ['LOG_FILE_PATH'] = os.path.join(_session_dir, 'logs', 'app.log')
os.environ.pop('CRON_SECRET', None)
