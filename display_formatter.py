#!/usr/bin/env python3
"""
Display Formatting for the Harmony MQTT Bridge

Console listing of the topics a sync produced, used by `list-topics`.
"""

from typing import Optional

from routing_table import ActivitySelect, ActivitySwitch, ButtonPress, PowerOff, RoutingTable


class DisplayFormatter:
    """Handles formatting of routing tables for console display"""

    def __init__(self):
        self.action_icons = {
            ButtonPress: '🎮',
            ActivitySwitch: '🎯',
            ActivitySelect: '🔀',
            PowerOff: '⚫',
        }

    def describe_action(self, action) -> str:
        if isinstance(action, ButtonPress):
            return f"press {action.command} (device {action.device_id})"
        if isinstance(action, ActivitySwitch):
            return f"start {action.label} (ID: {action.activity_id})"
        if isinstance(action, ActivitySelect):
            return "select activity by label / POWEROFF"
        if isinstance(action, PowerOff):
            return "power off"
        return repr(action)

    def format_routing_table(self, table: RoutingTable, current_activity: Optional[str] = None) -> str:
        """
        Format every routed topic with the hub action it triggers

        Args:
            table: Routing table from a completed sync
            current_activity: Label of the running activity, if known

        Returns:
            Formatted listing string
        """
        lines = []

        lines.append("╭─────────────────────────────────────────────────────────╮")
        lines.append("│                 📡 HARMONY MQTT TOPICS                 │")
        lines.append("╰─────────────────────────────────────────────────────────╯")
        lines.append("")

        lines.append("🎯 CURRENT ACTIVITY:")
        lines.append(f"  🟢 {current_activity}" if current_activity else "  ⚫ Unknown")
        lines.append("")

        lines.append(f"📋 TOPICS ({len(table)} routed, {len(table.activities)} activities):")
        for topic, action in sorted(table.items()):
            icon = self.action_icons.get(type(action), '📱')
            lines.append(f"  {icon} {topic}")
            lines.append(f"     └─ {self.describe_action(action)}")
        lines.append("")

        if table.collisions:
            lines.append(f"⚠️  DROPPED COLLISIONS ({len(table.collisions)}):")
            for collision in table.collisions:
                lines.append(f"  ❌ {collision.topic}")
                lines.append(f"     └─ {self.describe_action(collision.dropped)}")
            lines.append("")

        return "\n".join(lines)
