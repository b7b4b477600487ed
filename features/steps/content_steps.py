"""Step definitions for content pages, access checks and content creation.

Every step delegates to the StepLibrary that environment.py binds to
context.steps before each scenario; failures surface as
content_steps.common.errors.StepError subclasses.
"""

import parse
from behave import given, register_type, then


@parse.with_pattern(r"view|edit|update|delete")
def parse_access_op(text):
    """Access-control verb of a phrase."""
    return text


register_type(AccessOp=parse_access_op)


def _table_rows(table):
    """Table rows as column name -> value dicts, in order."""
    if table is None:
        return []
    return [dict(zip(table.headings, row.cells)) for row in table]


@given('I am visiting the "{type_label}" content "{title}"')
@given('I visit the "{type_label}" content "{title}"')
def step_view_content(context, type_label, title):
    """Open the view page of a content item."""
    context.steps.visit_content_page("view", type_label, title)


@given('I am editing the "{type_label}" content "{title}"')
@given('I edit the "{type_label}" content "{title}"')
def step_edit_content(context, type_label, title):
    """Open the edit form of a content item."""
    context.steps.visit_content_page("edit", type_label, title)


@given('I am deleting the "{type_label}" content "{title}"')
@given('I delete the "{type_label}" content "{title}"')
def step_delete_content(context, type_label, title):
    """Open the delete confirmation of a content item."""
    context.steps.visit_content_page("delete", type_label, title)


@then("I should get an access denied error")
def step_access_denied(context):
    context.steps.assert_access_denied()


@then("I wait {seconds:d} seconds")
def step_wait(context, seconds):
    context.steps.wait_seconds(seconds)


@then('"{name}" can {op:AccessOp} content "{title}"')
def step_user_can(context, name, op, title):
    """Check that an account may perform an operation on a content item."""
    context.steps.assert_user_can_operate(name, op, title)


@then('"{name}" can not {op:AccessOp} content "{title}"')
def step_user_can_not(context, name, op, title):
    """Check that an account may not perform an operation on a content item."""
    context.steps.assert_user_cannot_operate(name, op, title)


@then('I should see the link "{link}" to edit content "{title}"')
def step_see_edit_link(context, link, title):
    context.steps.assert_edit_link_visible(link, title)


@then('I should not see a link to edit content "{title}"')
def step_no_edit_link(context, title):
    context.steps.assert_edit_link_not_visible(title)


@then('I should see in the header "{header}":"{value}"')
def step_header(context, header, value):
    context.steps.assert_response_header(header, value)


@then('the "{locator}" field should be a "{tag_name}" element')
def step_field_type(context, locator, tag_name):
    context.steps.assert_field_element_type(locator, tag_name)


@given("users")
@given("users:")
def step_users(context):
    """Create accounts for this scenario.

    | name       | pass   | permissions                          |
    | Joe Editor | secret | access content, edit any page content |
    """
    context.steps.create_users(_table_rows(context.table))


@given('I am logged in as "{name}"')
def step_logged_in(context, name):
    context.steps.log_in_as(name)


@given("I am not logged in")
def step_logged_out(context):
    context.steps.log_out()


@given('"{user}" created "{type_label}" content')
@given('"{user}" created "{type_label}" content:')
def step_created_content(context, user, type_label):
    """Create content of a type through the add form, one row per item.

    | title    | body       |
    | My title | Some text  |
    """
    context.steps.create_content_batch(user, type_label, _table_rows(context.table))
