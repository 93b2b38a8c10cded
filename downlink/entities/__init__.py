"""Game objects: challenges, tasks, computers, companies and missions."""
