"""
Member-level diff for classes, interfaces and enums.

Reports added, removed, re-signed and re-scoped members so that reviewers
see which methods changed rather than only that a class changed.
"""
from dataclasses import dataclass
from typing import Optional

from doccov.diff.compat import is_assignable
from doccov.diff.signatures import Change, compare_signatures
from doccov.matcher import find_replacement
from doccov.models import ExportSymbol, Member, Visibility


@dataclass(frozen=True)
class MemberChange:
    """A change to one member of an exported class, interface or enum."""
    class_name: str
    member_name: str
    member_kind: str
    change_type: str
    breaking: bool
    old_signature: Optional[str] = None
    new_signature: Optional[str] = None
    suggestion: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "className": self.class_name,
            "memberName": self.member_name,
            "memberKind": self.member_kind,
            "changeType": self.change_type,
            "breaking": self.breaking,
            "oldSignature": self.old_signature,
            "newSignature": self.new_signature,
            "suggestion": self.suggestion,
            "reason": self.reason,
        }


def _members_by_name(export: Optional[ExportSymbol]) -> dict[str, Member]:
    members: dict[str, Member] = {}
    if export is not None:
        for member in export.members:
            members.setdefault(member.name, member)
    return members


def _type_changes(old: Member, new: Member) -> list[Change]:
    """Property and enum-member types are read covariantly."""
    if old.schema == new.schema:
        return []
    if old.schema is None or new.schema is None:
        return [Change(True, "member type changed")]
    if is_assignable(new.schema, old.schema):
        return [Change(False, "member type narrowed")]
    return [Change(True, "member type changed incompatibly")]


def _compare_member(class_name: str, old: Member, new: Member) -> list[MemberChange]:
    changes = []
    if old.visibility is not new.visibility:
        narrowed = new.visibility.rank < old.visibility.rank
        changes.append(MemberChange(
            class_name=class_name,
            member_name=new.name,
            member_kind=new.kind.value,
            change_type="visibility-changed",
            breaking=narrowed,
            old_signature=old.visibility.value,
            new_signature=new.visibility.value,
            reason=f"visibility {'narrowed' if narrowed else 'widened'} "
                   f"from {old.visibility.value} to {new.visibility.value}",
        ))

    if old.kind is not new.kind:
        structural = [Change(True, f"member kind changed from {old.kind.value} to {new.kind.value}")]
    else:
        structural = compare_signatures(old.signatures, new.signatures) + _type_changes(old, new)
    if structural:
        breaking = [c for c in structural if c.breaking]
        changes.append(MemberChange(
            class_name=class_name,
            member_name=new.name,
            member_kind=new.kind.value,
            change_type="signature-changed",
            breaking=bool(breaking),
            old_signature=old.render(),
            new_signature=new.render(),
            reason=(breaking or structural)[0].reason,
        ))
    return changes


def diff_members(base: Optional[ExportSymbol], head: Optional[ExportSymbol]) -> list[MemberChange]:
    """
    Member changes between two versions of one export.

    Members are matched by name. Changes to members that are private on
    both sides are not part of the public surface and are skipped.
    Removing a private member is reported but is not breaking.
    """
    class_name = (head or base).name
    old_members = _members_by_name(base)
    new_members = _members_by_name(head)
    changes: list[MemberChange] = []

    added = [name for name in new_members if name not in old_members]
    for name in added:
        member = new_members[name]
        changes.append(MemberChange(
            class_name=class_name,
            member_name=name,
            member_kind=member.kind.value,
            change_type="added",
            breaking=False,
            new_signature=member.render(),
        ))

    for name, member in old_members.items():
        if name in new_members:
            continue
        replacement = find_replacement(name, added or list(new_members))
        changes.append(MemberChange(
            class_name=class_name,
            member_name=name,
            member_kind=member.kind.value,
            change_type="removed",
            breaking=member.visibility is not Visibility.PRIVATE,
            old_signature=member.render(),
            suggestion=f"Use {replacement} instead" if replacement else None,
        ))

    for name, old in old_members.items():
        new = new_members.get(name)
        if new is None:
            continue
        if old.visibility is Visibility.PRIVATE and new.visibility is Visibility.PRIVATE:
            continue
        changes.extend(_compare_member(class_name, old, new))

    return changes
