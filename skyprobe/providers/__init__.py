"""Cloud resource managers built on the skyprobe wait framework."""
