"""
User-facing copy for entitlement results.
"""

from typing import Optional

from community_access.features import Feature, PermissionStatus, PromptType

ACCESS_GRANTED_MESSAGE = "Access granted"
FEATURE_UNAVAILABLE_MESSAGE = "Feature unavailable"
GENERIC_PROMPT_MESSAGE = "Upgrade for more access"
CHECK_FAILED_MESSAGE = "Permission check failed"

# feature -> (login copy, upgrade copy); "{target}" is the target level name
PROMPT_MESSAGES = {
    Feature.PROMPT: ("Log in to view the prompt", "Upgrade to {target} to view the prompt"),
    Feature.SOURCE_CODE: ("Log in to view the source code", "Upgrade to {target} to view the source code"),
    Feature.UPLOAD: ("Log in to upload works", "Upgrade to {target} to upload works"),
    Feature.VOTE: ("Log in to vote", "Log in to vote"),
    Feature.COMMENT: ("Log in to comment", "Log in to comment"),
}


def permission_message(
    feature: Feature,
    status: PermissionStatus,
    prompt_type: Optional[PromptType] = None,
    target_name: Optional[str] = None,
) -> str:
    if status is PermissionStatus.VISIBLE:
        return ACCESS_GRANTED_MESSAGE
    if status is PermissionStatus.HIDDEN:
        return FEATURE_UNAVAILABLE_MESSAGE

    copy = PROMPT_MESSAGES.get(feature)
    if copy is None:
        return GENERIC_PROMPT_MESSAGE
    login_copy, upgrade_copy = copy
    if prompt_type is PromptType.LOGIN:
        return login_copy
    if "{target}" in upgrade_copy and not target_name:
        return GENERIC_PROMPT_MESSAGE
    return upgrade_copy.format(target=target_name)
