from typing import List, Dict, Any, Optional


class BlockBuilder:
    @staticmethod
    def build_notification_blocks(title: str, message: str, context: Optional[str] = None) -> List[Dict[str, Any]]:
        blocks = [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*{title}*\n{message}"
                }
            }
        ]
        if context:
            blocks.append({
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": context}
                ]
            })
        return blocks

    @staticmethod
    def build_submission_blocks(intern_name: str, week: int, entry_count: int, date_range: str) -> List[Dict[str, Any]]:
        return [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*📥 New Logbook Submission*\n{intern_name} submitted *Week {week}* for review."
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Entries:*\n{entry_count}"},
                    {"type": "mrkdwn", "text": f"*Period:*\n{date_range}"}
                ]
            },
            {
                "type": "divider"
            }
        ]

    @staticmethod
    def build_review_blocks(week: int, approved: bool, comment: Optional[str] = None) -> List[Dict[str, Any]]:
        if approved:
            header = f"*✅ Logbook Approved*\nYour Week {week} logbook has been approved!"
        else:
            header = f"*⚠️ Logbook Needs Revision*\nYour Week {week} logbook needs revision."

        blocks = [
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": header}
            }
        ]
        if comment:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Mentor comment:*\n>{comment}"}
            })
        return blocks

    @staticmethod
    def build_pending_digest_blocks(pending: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Digest of weeks waiting for the mentor's review."""
        blocks = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": "📋 Logbooks awaiting your review"}
            },
            {
                "type": "divider"
            }
        ]

        if not pending:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": "_Nothing pending. Nice work!_"}
            })
            return blocks

        for item in pending:
            blocks.append({
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"• *{item['intern_name']}*: Week {item['week']} ({item['entry_count']} entries)"
                }
            })
        return blocks
