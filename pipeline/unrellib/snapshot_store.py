import json
import os
import tempfile
from datetime import datetime

from unrellib import snapshot

TIMESTAMP_FILENAME = "timestamp.json"
TEMP_PREFIX = ".tmp_"


#============================================
def snapshot_path(data_dir: str, repo_name: str) -> str:
	"""
	Return the snapshot file path for one repository.
	"""
	return os.path.join(data_dir, f"{repo_name}.json")


#============================================
def write_json_file(path: str, payload: dict) -> str:
	"""
	Write JSON to path through a temp file so readers never see a partial file.
	"""
	directory = os.path.dirname(os.path.abspath(path))
	os.makedirs(directory, exist_ok=True)
	handle = tempfile.NamedTemporaryFile(
		"w",
		encoding="utf-8",
		dir=directory,
		prefix=TEMP_PREFIX,
		suffix=".json",
		delete=False,
	)
	try:
		with handle:
			json.dump(payload, handle, ensure_ascii=False, indent=2)
			handle.write("\n")
		os.replace(handle.name, path)
	except BaseException:
		if os.path.exists(handle.name):
			os.remove(handle.name)
		raise
	return path


#============================================
def read_json_file(path: str):
	with open(path, "r", encoding="utf-8") as handle:
		try:
			return json.load(handle)
		except json.JSONDecodeError as error:
			raise snapshot.SnapshotSchemaError(f"{path}: invalid JSON: {error}") from error


#============================================
def write_snapshot(data_dir: str, repo_snapshot: snapshot.RepositorySnapshot) -> str:
	"""
	Persist one repository snapshot, replacing any previous file.
	"""
	path = snapshot_path(data_dir, repo_snapshot.name)
	return write_json_file(path, repo_snapshot.to_dict())


#============================================
def load_snapshot(path: str) -> snapshot.RepositorySnapshot:
	"""
	Load and validate one snapshot file.
	"""
	data = read_json_file(path)
	return snapshot.RepositorySnapshot.from_dict(data, where=path)


#============================================
def list_snapshot_files(data_dir: str) -> list[str]:
	"""
	List snapshot files in data_dir, dot-named repositories included.

	The crawl timestamp file and leftover temp files are excluded.
	"""
	if not os.path.isdir(data_dir):
		return []
	paths = []
	for filename in sorted(os.listdir(data_dir)):
		if not filename.endswith(".json"):
			continue
		if filename == TIMESTAMP_FILENAME or filename.startswith(TEMP_PREFIX):
			continue
		path = os.path.join(data_dir, filename)
		if os.path.isfile(path):
			paths.append(path)
	return paths


#============================================
def load_snapshots(data_dir: str) -> list[snapshot.RepositorySnapshot]:
	"""
	Load every snapshot in data_dir sorted by repository name.

	Raises SnapshotSchemaError on the first malformed file.
	"""
	snapshots = [load_snapshot(path) for path in list_snapshot_files(data_dir)]
	snapshots.sort(key=lambda item: item.name)
	return snapshots


#============================================
def write_crawl_timestamp(data_dir: str, crawled_at: datetime) -> str:
	"""
	Record when the last full crawl completed.
	"""
	path = os.path.join(data_dir, TIMESTAMP_FILENAME)
	payload = {"last_crawled": snapshot.format_timestamp(crawled_at)}
	return write_json_file(path, payload)


#============================================
def load_crawl_timestamp(data_dir: str) -> datetime | None:
	"""
	Read the last crawl time; None when no crawl has recorded one.
	"""
	path = os.path.join(data_dir, TIMESTAMP_FILENAME)
	if not os.path.isfile(path):
		return None
	data = read_json_file(path)
	if not isinstance(data, dict):
		raise snapshot.SnapshotSchemaError(f"{path}: expected an object, got {type(data).__name__}")
	return snapshot.require_timestamp(data, "last_crawled", path)
