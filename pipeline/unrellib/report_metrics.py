# Standard Library
import math
from datetime import datetime
from datetime import timezone

# local repo modules
from unrellib import snapshot

GREEN_RGB = (16, 185, 129)
YELLOW_RGB = (251, 191, 36)
RED_RGB = (239, 68, 68)
SECONDS_PER_DAY = 24 * 60 * 60


#============================================
def whole_days_between(start: datetime, end: datetime) -> int:
	"""
	Whole days from start to end, truncated toward zero.
	"""
	return int((end - start).total_seconds() / SECONDS_PER_DAY)


#============================================
def days_behind(repo_snapshot: snapshot.RepositorySnapshot) -> int:
	"""
	Days between the latest release and the newest unreleased commit.
	"""
	if not repo_snapshot.unreleased_commits:
		return 0
	release_time = repo_snapshot.latest_release_time
	newest_time = repo_snapshot.unreleased_commits[0].timestamp
	if (release_time is None) or (newest_time is None):
		return 0
	return whole_days_between(release_time, newest_time)


#============================================
def days_since_release(repo_snapshot: snapshot.RepositorySnapshot, now: datetime) -> int:
	"""
	Days elapsed since the latest release was published.
	"""
	if repo_snapshot.latest_release_time is None:
		return 0
	return whole_days_between(repo_snapshot.latest_release_time, now)


#============================================
def interpolate_color(start_rgb: tuple, end_rgb: tuple, factor: float) -> tuple[int, int, int]:
	"""
	Blend two RGB colors; factor 0 gives start_rgb, 1 gives end_rgb.
	"""
	# math.floor(x + 0.5) rounds half away from zero for these positive channels
	blended = [
		int(math.floor(start + factor * (end - start) + 0.5))
		for start, end in zip(start_rgb, end_rgb)
	]
	return blended[0], blended[1], blended[2]


#============================================
def color_for_value(normalized_value: float) -> str:
	"""
	Map 0..1 onto a green -> yellow -> red hex color.
	"""
	if normalized_value < 0.5:
		rgb = interpolate_color(GREEN_RGB, YELLOW_RGB, normalized_value * 2)
	else:
		rgb = interpolate_color(YELLOW_RGB, RED_RGB, (normalized_value - 0.5) * 2)
	return "#{:02x}{:02x}{:02x}".format(*rgb)


#============================================
def text_color_for_value(normalized_value: float) -> str:
	"""
	Pick white text on the darker end of the scale, black otherwise.
	"""
	if normalized_value > 0.6:
		return "#ffffff"
	return "#000000"


#============================================
def scale_colors(values: list[int]) -> list[tuple[str, str]]:
	"""
	Return (background, text) color pairs scaled between min and max of values.
	"""
	if not values:
		return []
	low = min(values)
	span = max(values) - low
	pairs = []
	for value in values:
		normalized = 0.0
		if span > 0:
			normalized = (value - low) / span
		pairs.append((color_for_value(normalized), text_color_for_value(normalized)))
	return pairs


#============================================
def format_footer_timestamp(value: datetime | None) -> str:
	"""
	Format the last crawl time for page footers, e.g. 'January 2, 2006 15:04 UTC'.
	"""
	if value is None:
		return ""
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	utc_value = value.astimezone(timezone.utc)
	return f"{utc_value:%B} {utc_value.day}, {utc_value:%Y %H:%M} UTC"


#============================================
def repo_page_name(repo_name: str) -> str:
	return f"{repo_name}.html"


#============================================
def build_index_summary(snapshots: list[snapshot.RepositorySnapshot], now: datetime) -> dict:
	"""
	Build the index page context: one row per repository plus totals.

	Args:
		snapshots: loaded snapshots, already in display order.
		now: reference time for days-since-release.

	Returns:
		Dict with owner, totals, per-column min/max and a 'repos' row list.
	"""
	rows = []
	for repo_snapshot in snapshots:
		rows.append({
			"name": repo_snapshot.name,
			"commit_count": len(repo_snapshot.unreleased_commits),
			"days_behind": days_behind(repo_snapshot),
			"days_since_release": days_since_release(repo_snapshot, now),
			"latest_release": repo_snapshot.latest_release_tag,
			"url": repo_page_name(repo_snapshot.name),
			"repository_url": repo_snapshot.repository_url,
			"default_branch": repo_snapshot.default_branch,
		})

	columns = {
		"commit_count": "commit_count",
		"days_behind": "days_behind",
		"days_since_release": "days_since",
	}
	bounds = {}
	for column, prefix in columns.items():
		values = [row[column] for row in rows]
		for row, (background, text) in zip(rows, scale_colors(values)):
			row[f"{prefix}_bg_color"] = background
			row[f"{prefix}_text_color"] = text
		bounds[f"min_{column}"] = min(values) if values else 0
		bounds[f"max_{column}"] = max(values) if values else 0

	owner = snapshots[0].owner if snapshots else ""
	summary = {
		"owner": owner,
		"total_repos": len(rows),
		"total_commits": sum(row["commit_count"] for row in rows),
		"repos_with_commits": sum(1 for row in rows if row["commit_count"] > 0),
		"repos": rows,
	}
	summary.update(bounds)
	return summary


#============================================
def build_repo_context(repo_snapshot: snapshot.RepositorySnapshot, now: datetime) -> dict:
	"""
	Build the per-repository page context.
	"""
	return {
		"repo": repo_snapshot,
		"commit_count": len(repo_snapshot.unreleased_commits),
		"days_behind": days_behind(repo_snapshot),
		"days_since_release": days_since_release(repo_snapshot, now),
	}
