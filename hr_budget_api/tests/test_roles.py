from src.core.roles import Role, has_role_access, is_admin, is_super_user, parse_required_roles


def test_parse_required_roles_trims_and_drops_blanks():
    assert parse_required_roles(" ADMIN , HRBP,,") == ["ADMIN", "HRBP"]
    assert parse_required_roles("") == []
    assert parse_required_roles(None) == []


def test_admin_flag_or_role_makes_admin():
    assert is_admin([], admin_flag=True)
    assert is_admin(["ADMIN"])
    assert is_admin([Role.ADMIN])
    assert not is_admin(["SUPER_USER"])


def test_admin_is_implicitly_super_user():
    assert is_super_user(["ADMIN"])
    assert is_super_user(["SUPER_USER"])
    assert not is_super_user(["HRBP"])


def test_admin_passes_everything():
    assert has_role_access(["HRBP"], [], admin_flag=True)
    assert has_role_access(["SOMETHING_ELSE"], ["ADMIN"])


def test_super_user_cannot_satisfy_admin_requirement():
    assert not has_role_access(["ADMIN"], ["SUPER_USER"])
    assert has_role_access(["SUPER_USER"], ["SUPER_USER"])
    assert has_role_access(["ADMIN", "SUPER_USER"], ["SUPER_USER"])


def test_other_roles_match_by_membership():
    assert has_role_access(["HRBP", "USER"], ["USER"])
    assert not has_role_access(["HRBP"], ["USER"])
    assert not has_role_access([], ["USER"])
